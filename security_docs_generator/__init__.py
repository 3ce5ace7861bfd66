# Synthetic security documents generator for Elasticsearch

__version__ = "0.1.0"
