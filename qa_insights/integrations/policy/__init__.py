"""
Request/response policy for the search backend: query construction and
response normalization, kept free of network concerns.
"""
