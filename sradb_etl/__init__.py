"""
SRAdb ETL CLI Tool

Pulls run-level sample metadata for one study out of a local SRAmetadb
SQLite snapshot and writes it as a flat table keyed by run accession.
"""

__version__ = "1.0.0"
__author__ = "SRAdb ETL Team"
__description__ = "A CLI tool for extracting study sample metadata from an SRAdb snapshot"
