"""Catalog repository - Database operations for wellness programs"""

from typing import Optional

from sqlalchemy.orm import Session

from ...database import commit
from ...models import Program


class ProgramRepository:
    """Repository for catalog database operations"""

    @staticmethod
    def list_programs(db: Session, active_only: bool = True) -> list[Program]:
        """Popular programs first, then alphabetical"""
        query = db.query(Program)
        if active_only:
            query = query.filter(Program.is_active.is_(True))
        return query.order_by(Program.popular.desc(), Program.title.asc()).all()

    @staticmethod
    def get_program(db: Session, program_id: str) -> Optional[Program]:
        return db.query(Program).filter(Program.id == program_id).first()

    @staticmethod
    def create_program(db: Session, **program_data) -> Program:
        program = Program(**program_data)
        db.add(program)
        commit(db)
        db.refresh(program)
        return program

    @staticmethod
    def update_program(db: Session, program: Program, **updates) -> Program:
        for key, value in updates.items():
            if hasattr(program, key):
                setattr(program, key, value)
        commit(db)
        db.refresh(program)
        return program

    @staticmethod
    def delete_program(db: Session, program: Program) -> None:
        db.delete(program)
        commit(db)
