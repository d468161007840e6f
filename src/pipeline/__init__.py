"""Execution engine: DAG planning, step loop, budget and concurrency."""
