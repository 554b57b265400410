"""MongoDB workload generator.

Workers insert, look up and update synthetic ``Robot`` documents in disjoint
key ranges and log per-phase latency, including how much faster a lookup on
the indexed ``name`` field is than the same lookup on ``nickname``.
"""

__version__ = "0.1.0"
