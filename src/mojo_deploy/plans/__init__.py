"""Deployment plans shipped as package data."""
