from abc import ABC, abstractmethod


class BaseTextExtractor(ABC):
    """Contract for all text extraction adapters."""

    @abstractmethod
    def extract(self, data: bytes) -> str:
        """Extract plain text from file bytes.

        Args:
            data: Raw file content.

        Returns:
            Extracted text as a single stripped string (may be empty).

        Raises:
            ExtractionError: if extraction fails for any reason.
        """
