"""Server entry points (gunicorn runner and WSGI module)."""
