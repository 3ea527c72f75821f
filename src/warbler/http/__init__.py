"""HTTP primitives: immutable requests, chainable responses, cookies."""
