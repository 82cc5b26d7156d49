"""
loginvault - credential and token lifecycle for a user account service.

Login-link tokens, password reset codes and salted password hashes, with
single-use consumption enforced by the backing store.
"""

__version__ = "0.1.0"
