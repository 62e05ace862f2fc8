from . import Users
from . import Posts
