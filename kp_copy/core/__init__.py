"""Path mapping, tar streaming and sink orchestration."""
