"""ChunkForge command line interface.

Entry point: ``chunkforge`` (see chunkforge.cli.main.cli_main).
"""
