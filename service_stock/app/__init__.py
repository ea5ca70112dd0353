"""
Internal Stock Service package for the Relay Access Layer.

Private create/get API for stock items, guarded by the private network
boundary, request signature verification and the stock resource policy.
"""
