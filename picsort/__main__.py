from picsort.cli.main import cli

cli()
