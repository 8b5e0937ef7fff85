# backend/wsgi.py
from printpos import create_app

app = create_app()
