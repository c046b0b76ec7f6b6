"""Domain records, errors and collaborator protocols."""
