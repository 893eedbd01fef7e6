from pydantic import BaseModel


class MaterialCompletion(BaseModel):
    progress_percentage: int
    is_completed: bool
    total_items: int
    completed_items: int
