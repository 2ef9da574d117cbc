"""Target resolution, dispatch and output capture."""
