from blogsmith.cli import app

app(prog_name="blogsmith")
