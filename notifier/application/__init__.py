"""Application services orchestrating the delivery pipeline."""
