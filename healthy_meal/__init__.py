"""Healthy Meal API: recipe management with AI-assisted generation."""
