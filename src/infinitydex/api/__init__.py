"""HTTP API for starting, signalling and polling swaps."""
