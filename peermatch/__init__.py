"""
Peer session matching core: compatibility scoring, partner selection and
waiting-queue lifecycle.
"""

__version__ = "0.1.0"
