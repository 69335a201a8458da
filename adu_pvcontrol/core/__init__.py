"""Domain types shared by the content handler and the shell tasks."""
