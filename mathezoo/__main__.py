from mathezoo.cli.mathezoo_cli import run

run()
