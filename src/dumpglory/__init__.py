"""DUMP/GLORY — an epoch-scoped token game modelled as a state machine.

DUMP is a demurrage token that players try to get rid of; GLORY is the
reputation token that ranks them. See ``dumpglory.service`` for the
facade that exposes every operation.
"""

__version__ = "0.1.0"
