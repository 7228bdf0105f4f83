"""
casegraph: entity relationship network engine for investigation records.
"""
