"""parcov - coverage aggregation for parallel test runs.

Runs a suite across worker processes, merges their statement-coverage
profiles so the result does not depend on the worker count, and places
per-package profiles according to the output rules.
"""

__version__ = "0.1.0"
