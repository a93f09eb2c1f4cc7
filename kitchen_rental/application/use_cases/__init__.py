"""Use cases of the rental booking system."""
