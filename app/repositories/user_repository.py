from app.models.user import User
from app.repositories.base_repository import BaseRepository, RepositoryErrorMessages, RepositoryOptions

class UserRepository(BaseRepository[User]):
    model = User

    def __init__(self, engine):
        super().__init__(engine, RepositoryOptions(
            primary_key="user_id",
            error_messages=RepositoryErrorMessages(not_found="User not found"),
        ))
