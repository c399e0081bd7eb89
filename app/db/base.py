# Import every table model so SQLModel.metadata knows about it
from app.models.review_model import Review  # noqa: F401
from app.models.review_vote_model import ReviewVote  # noqa: F401
