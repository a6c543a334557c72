"""Applier interface and options, and an applier that runs kubectl."""