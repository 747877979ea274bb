from keyrelay.cli.main import app

app(prog_name="keyrelay")
