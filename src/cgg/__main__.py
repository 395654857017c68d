from cgg.cli import app

app(prog_name="cgg")
