'''
Exceptions raised by the enrichment simulation.

Every failure is a hard stop of the current trade or period; nothing in the
package retries. The scheduler decides what happens to the run.
'''

class EnrichmentError(Exception):
    """Base class for all enrichsim errors"""

class ConfigurationError(EnrichmentError, ValueError):
    """Facility parameters are inconsistent (assay ordering, negative capacities, unknown recipes)"""

class DegenerateAssay(EnrichmentError, ValueError):
    """Feed, product and tails assays do not define a valid separation"""

class CapacityExceeded(EnrichmentError, ValueError):
    """A push would take a bounded buffer above its capacity"""

class InsufficientQuantity(EnrichmentError, ValueError):
    """A pop asked for more material than a buffer holds"""

class CompositionMismatch(EnrichmentError, ValueError):
    """A delivered material does not match the recipe it was requested with"""

class ConstraintViolation(EnrichmentError, RuntimeError):
    """A matched trade needs more SWU or feed than the facility has left"""
