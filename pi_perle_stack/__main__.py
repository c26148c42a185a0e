import sys

from pi_perle_stack.pipeline.run_cycle import cli

sys.exit(cli())
