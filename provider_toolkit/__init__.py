"""Reusable core for AWS resource providers: convergence waiting, tag reconciliation, resource glue."""
