"""Pure domain logic with no persistence or network dependencies."""
