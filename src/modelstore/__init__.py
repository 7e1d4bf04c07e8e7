# src/modelstore/__init__.py — v1
