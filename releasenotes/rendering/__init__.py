"""Template rendering: placeholder tables, custom placeholders and cleanup passes."""
