"""api/ -- Reference FastAPI application wiring the auth/ session library.

Layer rule: api/ imports from auth/ and core/, never the other way around.
"""
