"""Pure domain layer: clock, calendar helpers, workflow primitives, DTOs."""
