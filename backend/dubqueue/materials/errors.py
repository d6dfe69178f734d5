"""
Material-specific error types.

All errors inherit from MaterialError for easy catching.
"""


class MaterialError(Exception):
    """Base exception for all material-related failures."""
    pass


class DuplicateMaterialError(MaterialError):
    """Raised when a single-instance material type is attached twice."""

    def __init__(self, material_type: str):
        self.material_type = material_type
        super().__init__(
            f"Only one {material_type} material is allowed per project"
        )


class MaterialNotFoundError(MaterialError):
    """Raised when detaching a material index that is not attached."""

    def __init__(self, index: int):
        self.index = index
        super().__init__(f"No material attached at index {index}")
