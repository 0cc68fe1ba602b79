"""Daily study digest: rendering and dispatch."""
