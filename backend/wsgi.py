# backend/wsgi.py
from storerating import create_app

app = create_app()
