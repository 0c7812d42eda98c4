"""Run the core validation suite: python -m enzyme_reactor_sim.core"""

from . import run_all_validations

run_all_validations()
