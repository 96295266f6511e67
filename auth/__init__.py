"""auth/ -- Token issuer, access guard, and verification lifecycle for AccessGate.

Layer rule: auth/ imports stdlib, third-party libraries, core/ and notify/.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
