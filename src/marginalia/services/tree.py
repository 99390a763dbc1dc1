"""Materialization of answer trees into client-facing views.

Answers are loaded as a flat arena indexed by id; child lists are attached
in a second pass by parent lookup. Rendering then walks the arena to a
bounded depth, resolving each node's displayed identity, content, vote
counts and the viewer's capabilities.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Collection, Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from marginalia.core.security import Principal
from marginalia.models import Answer, AnswerState, AnswerVersion, Question, User
from marginalia.schemas.answer import AnswerView
from marginalia.schemas.question import QuestionView
from marginalia.services.errors import InternalCorruptionError
from marginalia.services.users import (
    DELETED_AVATAR_URL,
    anonymous_avatar_url,
    public_avatar_url,
)
from marginalia.services.votes import VoteValue, aggregate_votes_for, get_user_votes

logger = logging.getLogger(__name__)

DELETED_PLACEHOLDER = "[deleted]"


def latest_contents(db: Session, answer_ids: Collection[int] | None = None) -> dict[int, str]:
    """Return the newest version's content for each answer.

    Args:
        db: Database session.
        answer_ids: Restrict to these answers; None selects every answer.
    """
    newest = select(
        AnswerVersion.answer_id.label("answer_id"),
        func.max(AnswerVersion.id).label("max_id"),
    ).group_by(AnswerVersion.answer_id)
    if answer_ids is not None:
        if not answer_ids:
            return {}
        newest = newest.where(AnswerVersion.answer_id.in_(answer_ids))
    newest = newest.subquery()

    rows = db.execute(
        select(AnswerVersion.answer_id, AnswerVersion.content).join(
            newest,
            (AnswerVersion.answer_id == newest.c.answer_id)
            & (AnswerVersion.id == newest.c.max_id),
        )
    ).all()
    return {answer_id: content for answer_id, content in rows}


class AnswerTree:
    """Arena of answers indexed by id with child lists resolved by parent id."""

    def __init__(self, answers: Iterable[Answer]) -> None:
        self.nodes: dict[int, Answer] = {}
        for answer in answers:
            self.nodes[answer.id] = answer

        self.children: dict[int, list[int]] = defaultdict(list)
        self.roots: list[int] = []
        for answer_id in sorted(self.nodes):
            parent_id = self.nodes[answer_id].parent_id
            if parent_id is None:
                self.roots.append(answer_id)
            elif parent_id in self.nodes:
                self.children[parent_id].append(answer_id)

    @classmethod
    def for_question(cls, db: Session, question_id: int) -> AnswerTree:
        """Load every answer of a question in a single query."""
        answers = db.scalars(
            select(Answer).where(Answer.question_id == question_id).order_by(Answer.id)
        )
        return cls(answers)

    def within_depth(self, start_ids: Iterable[int], depth: int) -> list[int]:
        """Return the ids reachable from ``start_ids`` with at most ``depth`` hops."""
        reached: list[int] = []
        frontier = [answer_id for answer_id in start_ids if answer_id in self.nodes]
        for level in range(depth + 1):
            reached.extend(frontier)
            if level == depth:
                break
            frontier = [child for parent in frontier for child in self.children.get(parent, [])]
        return reached


class AnswerRenderer:
    """Renders nodes of an :class:`AnswerTree` for one viewer.

    The data each node needs (author rows, current content, vote counts and
    the viewer's votes) is fetched in bulk for the nodes about to be rendered.
    """

    def __init__(
        self,
        db: Session,
        tree: AnswerTree,
        *,
        viewer_is_admin: bool = False,
        viewer_id: int | None = None,
    ) -> None:
        self.db = db
        self.tree = tree
        self.viewer_is_admin = viewer_is_admin
        self.viewer_id = viewer_id
        self._contents: dict[int, str] = {}
        self._authors: dict[int, User] = {}
        self._counts: dict[int, tuple[int, int]] = {}
        self._viewer_votes: dict[int, VoteValue] = {}

    @classmethod
    def for_viewer(cls, db: Session, tree: AnswerTree, viewer: Principal | None) -> AnswerRenderer:
        return cls(
            db,
            tree,
            viewer_is_admin=bool(viewer and viewer.is_admin),
            viewer_id=viewer.id if viewer else None,
        )

    def _prefetch(self, answer_ids: list[int]) -> None:
        missing = [answer_id for answer_id in answer_ids if answer_id not in self._contents]
        if not missing:
            return

        self._contents.update(latest_contents(self.db, missing))

        author_ids = {self.tree.nodes[answer_id].user_id for answer_id in missing}
        author_ids.difference_update(self._authors)
        if author_ids:
            for user in self.db.scalars(select(User).where(User.id.in_(author_ids))):
                self._authors[user.id] = user

        # Only root answers carry votes.
        roots = [answer_id for answer_id in missing if not self.tree.nodes[answer_id].is_reply]
        self._counts.update(aggregate_votes_for(self.db, roots))
        self._viewer_votes.update(get_user_votes(self.db, roots, self.viewer_id))

    def render_many(self, answer_ids: list[int], depth: int) -> list[AnswerView]:
        """Render several nodes, each with up to ``depth`` levels of replies."""
        self._prefetch(self.tree.within_depth(answer_ids, depth))
        return [self._render(answer_id, depth) for answer_id in answer_ids]

    def render(self, answer_id: int, depth: int) -> AnswerView:
        """Render one node with up to ``depth`` levels of replies."""
        return self.render_many([answer_id], depth)[0]

    def _render(self, answer_id: int, depth: int) -> AnswerView:
        answer = self.tree.nodes[answer_id]
        author = self._authors.get(answer.user_id)
        if author is None:
            logger.error(
                "Answer %d references user %d which does not exist",
                answer.id,
                answer.user_id,
            )
            raise InternalCorruptionError("could not resolve the author of an answer")

        if answer.state != AnswerState.VISIBLE:
            username = DELETED_PLACEHOLDER
            avatar = DELETED_AVATAR_URL
            content = DELETED_PLACEHOLDER
        elif answer.anonymous:
            username = author.alias
            avatar = anonymous_avatar_url(author.alias)
            content = self._contents.get(answer.id, "")
        else:
            username = author.username
            avatar = public_avatar_url(author.id)
            content = self._contents.get(answer.id, "")

        child_ids = self.tree.children.get(answer.id, [])
        replies = [self._render(child_id, depth - 1) for child_id in child_ids] if depth > 0 else []
        upvotes, downvotes = self._counts.get(answer.id, (0, 0))

        return AnswerView(
            id=answer.id,
            created_at=answer.created_at,
            updated_at=answer.updated_at,
            question=answer.question_id,
            parent=answer.parent_id,
            user=username,
            user_avatar_url=avatar,
            content=content,
            upvotes=upvotes,
            downvotes=downvotes,
            state=int(answer.state),
            edited_by_admin=answer.edited_by_admin,
            can_i_delete=self.viewer_is_admin or (
                self.viewer_id is not None and self.viewer_id == answer.user_id
            ),
            i_voted=int(self._viewer_votes.get(answer.id, VoteValue.NONE)),
            reply_count=len(child_ids),
            replies=replies,
        )


def render_question(
    db: Session,
    question: Question,
    viewer: Principal | None,
    depth: int,
) -> QuestionView:
    """Render a question with its root answers and ``depth`` levels of replies."""
    tree = AnswerTree.for_question(db, question.id)
    renderer = AnswerRenderer.for_viewer(db, tree, viewer)
    return QuestionView(
        id=question.id,
        created_at=question.created_at,
        updated_at=question.updated_at,
        document=question.document,
        start=question.start,
        end=question.end,
        answers=renderer.render_many(tree.roots, depth),
    )


def render_answer(
    db: Session,
    answer: Answer,
    viewer: Principal | None,
    depth: int = 0,
) -> AnswerView:
    """Render a single answer, optionally with ``depth`` levels of replies."""
    tree = AnswerTree.for_question(db, answer.question_id)
    return AnswerRenderer.for_viewer(db, tree, viewer).render(answer.id, depth)


def render_replies(
    db: Session,
    answer: Answer,
    viewer: Principal | None,
    depth: int,
) -> list[AnswerView]:
    """Render the direct replies of ``answer``, ``depth`` levels below it in total."""
    if depth < 1:
        return []
    tree = AnswerTree.for_question(db, answer.question_id)
    renderer = AnswerRenderer.for_viewer(db, tree, viewer)
    return renderer.render_many(tree.children.get(answer.id, []), depth - 1)
