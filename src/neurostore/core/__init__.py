"""
Core models and memory logic for neurostore.
"""
