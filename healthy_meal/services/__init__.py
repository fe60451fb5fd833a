"""Supabase persistence and OpenRouter generation services."""
