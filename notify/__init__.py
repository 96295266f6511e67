"""notify/ -- Outbound notification collaborator (email) for AccessGate.

Layer rule: notify/ imports only stdlib + core/. It does NOT import from
api/ or auth/. auth/ and api/ call into notify/, not the other way around.
"""
