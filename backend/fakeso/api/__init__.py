"""HTTP blueprints: chat routes under /api/chat, game routes under /api/games."""
