"""Repository model."""

import json
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from ghstars.database import Base
from ghstars.utils import utc_now


class Repository(Base):
    """Starred repository - canonical catalog row, keyed by the GitHub id."""

    __tablename__ = "repositories"

    # GitHub numeric id, never reused
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    owner_login: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(511), nullable=False)
    html_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    language: Mapped[str | None] = mapped_column(String(100))

    # Popularity
    stargazers_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    forks_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    watchers_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    open_issues_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # GitHub timestamps
    created_at_gh: Mapped[datetime | None] = mapped_column(DateTime)
    updated_at_gh: Mapped[datetime | None] = mapped_column(DateTime)
    pushed_at_gh: Mapped[datetime | None] = mapped_column(DateTime)

    # Flags
    is_fork: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_private: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    disabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    default_branch: Mapped[str | None] = mapped_column(String(255))
    topics_json: Mapped[str | None] = mapped_column(Text)
    license_key: Mapped[str | None] = mapped_column(String(100))
    license_name: Mapped[str | None] = mapped_column(String(255))

    # Change detection
    readme_sha: Mapped[str | None] = mapped_column(String(64))
    needs_reindex: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    last_synced_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, server_default=func.now(), nullable=False
    )
    raw_data_json: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index("idx_repos_owner", "owner_login"),
        Index("idx_repos_lang", "language"),
        Index("idx_repos_pushed", "pushed_at_gh"),
        Index("idx_repos_readme_sha", "readme_sha"),
    )

    @property
    def topics(self) -> list[str]:
        if not self.topics_json:
            return []
        return json.loads(self.topics_json)


# Full names are unique ignoring case
Index("ux_repos_full_name_nocase", func.lower(Repository.full_name), unique=True)
