"""Core ingestion pipeline: fingerprinting, walking, fan-out and queries"""
