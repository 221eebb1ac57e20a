"""Run the gateway: ``python -m wellmed_gateway``."""
from wellmed_gateway.main import run

run()
