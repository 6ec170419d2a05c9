from gavel.cli import app

app()
