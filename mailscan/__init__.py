"""Incremental mailbox scanner for CommSec-style attachment mail."""
