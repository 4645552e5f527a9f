"""
Headless alert engine service.
"""
