"""
Exceptions métier du registre de réservations et du réconciliateur.

Les endpoints traduisent ces erreurs en réponses HTTP ; les services ne
connaissent pas FastAPI.
"""
from __future__ import annotations


class ReservationError(Exception):
    """Base de toutes les erreurs du domaine réservations."""


# ---------- Erreurs appelant (requête rejetée) ----------
class InvalidQuantity(ReservationError):
    pass


class InvalidExpiration(ReservationError):
    pass


class InvalidStateTransition(ReservationError):
    def __init__(self, reservation_id: int, current, target) -> None:
        self.reservation_id = reservation_id
        self.current = current
        self.target = target
        super().__init__(
            f"Reservation {reservation_id} cannot go from {current.value} to {target.value}"
        )


class ReservationNotFound(ReservationError):
    def __init__(self, reservation_id: int) -> None:
        self.reservation_id = reservation_id
        super().__init__(f"Reservation {reservation_id} not found")


class ProductNotFound(ReservationError):
    def __init__(self, product_id: int) -> None:
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


# ---------- Erreurs du sweep ----------
class SweepError(ReservationError):
    """Abandon complet du sweep ; le scheduler peut relancer."""

    retryable = True


class FetchFailure(SweepError):
    pass


class FlipFailure(SweepError):
    pass


class CounterUpdateFailure(ReservationError):
    """Échec sur le compteur d'un produit : loggé, jamais propagé par le sweep."""

    def __init__(self, product_id: int, phase: str, cause: Exception) -> None:
        self.product_id = product_id
        self.phase = phase
        self.cause = cause
        super().__init__(f"Counter {phase} failed for product {product_id}: {cause}")


class ClientNotFound(ReservationError):
    def __init__(self, client_id: int) -> None:
        self.client_id = client_id
        super().__init__(f"Client {client_id} not found")
