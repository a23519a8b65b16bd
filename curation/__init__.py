"""
Event curation and balancing engine
"""
