"""
Models package for the Dining Philosophers Simulator.
Contains configuration, forks, philosophers and the table state view.
"""
