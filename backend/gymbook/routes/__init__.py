# backend/gymbook/routes/__init__.py
