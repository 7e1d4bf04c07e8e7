# src/routing/__init__.py — v1
