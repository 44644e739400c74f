"""Phrase identity, progress migration and storage"""
