"""
Domain layer: matching (scoring and selection) and queue lifecycle.
"""
