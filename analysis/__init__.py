"""
Analysis package for the Dining Philosophers Simulator.
Contains the event log, the status reporter and run metrics.
"""
