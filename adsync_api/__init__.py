"""
HTTP API over the adsync engine.
"""
