from .comments import add_comment, edit_comment, list_comments

__all__ = ["add_comment", "edit_comment", "list_comments"]
