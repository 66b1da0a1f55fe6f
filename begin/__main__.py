from begin.cli import app

app(prog_name="begin")
