from wsrpc_cli.cli.main import cli

cli(prog_name="wsrpc")
