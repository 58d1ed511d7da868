# backend/wsgi.py
# Entry point for `flask --app wsgi.py ...` and WSGI servers.
from g24pos import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=True)
