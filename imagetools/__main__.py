from imagetools.cli.main import cli_entry

cli_entry()
