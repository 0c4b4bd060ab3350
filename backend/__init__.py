"""Loop ASMR Studio backend."""
