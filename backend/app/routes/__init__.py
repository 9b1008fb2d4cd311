# Versioned routers live in routes/v1.
