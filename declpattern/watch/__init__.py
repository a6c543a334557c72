"""Dynamic watches that turn changes to child objects into events."""