"""Services for running swaps and tracking their transactions."""
