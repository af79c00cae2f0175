import sys

from subtitle_translator.cli import run_cli

sys.exit(run_cli())
