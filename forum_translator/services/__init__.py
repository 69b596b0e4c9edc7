"""Translation services: provider access, shared-store helpers and publishing."""
