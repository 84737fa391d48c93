"""Live synchronization core for the pupervisor dashboard."""
