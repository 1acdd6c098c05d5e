# backend/formadb/__init__.py
"""
Training documents and signature reconciliation backend.

Model modules live in formadb/apps/*/models.py and are imported by
formadb.models so Alembic and Base.metadata.create_all() see every table.
"""
