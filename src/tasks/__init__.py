# src/tasks/__init__.py — v1
