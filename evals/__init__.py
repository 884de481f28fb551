"""
Evaluation suite -- scheduler, session continuity, wire protocol, gateway.

Run evals: pytest evals/ -v
"""
