from featurecheck.cli.commands import app

app(prog_name="featurecheck")
