"""Deployment pipeline for publishing compiled contracts to test networks."""
