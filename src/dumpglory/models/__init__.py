"""Plain data models — epochs, participants, fee pot, bug reports."""
