"""External integrations: outbound email and mailbox OAuth."""
