"""Command line interface for the MatheZoo engine."""
