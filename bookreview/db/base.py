# Import every table model so SQLModel.metadata knows about all of them.
from bookreview.models.user_model import User  # noqa: F401
from bookreview.models.book_model import Book  # noqa: F401
from bookreview.models.review_model import Review  # noqa: F401
from bookreview.models.comment_model import Comment  # noqa: F401
from bookreview.models.review_flag_model import ReviewFlag  # noqa: F401
