"""Command line interface for sslexpiry."""
