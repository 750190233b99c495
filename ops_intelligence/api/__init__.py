"""
HTTP API for the operations intelligence engine.
"""
