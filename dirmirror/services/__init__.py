"""
Supporting services.
"""
