"""Infrastructure adapters: persistence, broker and delivery channels."""
