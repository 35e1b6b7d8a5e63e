# backend/wsgi.py
from thintava import create_app

app = create_app()
