"""Research report pagination, rendering and export."""
