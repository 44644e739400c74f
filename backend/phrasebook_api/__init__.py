"""HTTP API for the phrasebook data directory"""
