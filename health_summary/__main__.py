from .cli import app

app(prog_name="health-summary")
