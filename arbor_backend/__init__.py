"""Flask API for the urban tree census backend."""
