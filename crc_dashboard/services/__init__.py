"""Application services layer.

Services coordinate domain records with the store, session and broadcast
channel. They should avoid UI concerns.
"""
