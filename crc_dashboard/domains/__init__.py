"""Domain layer (records, error taxonomy and derived-state rules).

Domain modules do not touch storage or the broadcast channel.
"""
