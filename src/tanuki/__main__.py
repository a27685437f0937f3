from tanuki.cli import app

app(prog_name="tanuki")
