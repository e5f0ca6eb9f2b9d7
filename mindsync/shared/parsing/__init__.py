"""Request body and cookie parsing stages."""
