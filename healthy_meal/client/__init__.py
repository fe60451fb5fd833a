"""Async Python clients for the Healthy Meal API."""
