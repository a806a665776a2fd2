"""
Exam Sync Test Suite
Callback ingestion and appointment sync
"""
