"""TurfEase sports-turf booking marketplace backend."""
