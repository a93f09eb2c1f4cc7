"""Adapters for the application ports: in-memory, SQL, Stripe and event sinks."""
