"""Pure domain layer: values, DTOs and ledger arithmetic.  Zero I/O."""
