"""Catalog domain: model, ports and the ingestion services built on them."""
