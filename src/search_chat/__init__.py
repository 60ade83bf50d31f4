"""
Terminal client for a streaming conversational search backend.
"""
__version__ = "0.1.0"
