"""Demo drivers for structured output and model comparison."""
