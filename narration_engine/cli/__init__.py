"""Developer CLI for replaying rounds against a running collaborator."""
