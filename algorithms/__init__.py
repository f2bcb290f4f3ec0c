"""
Algorithms package for the Dining Philosophers Simulator.
Contains the fork ring builder, the fork acquisition protocol and the philosopher actor.
"""
