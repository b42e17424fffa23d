"""Core services — path rewriting, build stages, orchestration and watching."""
