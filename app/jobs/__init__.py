"""
app/jobs package: in-process task orchestrator and job handlers.
"""
