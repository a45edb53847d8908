"""auth/ -- Accounts, password credentials and opaque-key sessions.

Layer rule: auth/ imports from core/ and db/ plus third-party libraries.
main.py imports from auth/, not the other way around.
"""
