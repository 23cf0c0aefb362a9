"""Runtime services shared by every component."""
