"""repowiki — repository ingestion and documentation pipeline."""
