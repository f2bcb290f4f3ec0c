"""
Utilities package for the Dining Philosophers Simulator.
Contains the logger and the configuration file loader.
"""
