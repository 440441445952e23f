"""Swap workflow: step executors, orchestrator and the runtime they run on."""
