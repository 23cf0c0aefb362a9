"""Host adapters embedding the revert coordinator."""
