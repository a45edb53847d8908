"""db/ -- Relational storage collaborator (SQLAlchemy Core).

Layer rule: db/ may import from core/ only. auth/ imports from db/, not the
other way around.
"""
