"""DBML Toolkit command line package."""
