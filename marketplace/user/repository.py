import uuid
from sqlalchemy import select
from marketplace.schema.full_schema import Credential, CredentialType, Role, UserRole, Users


async def identify_user_by_pid(session,user_pid):
    try:
        user_pid = user_pid if isinstance(user_pid,uuid.UUID) else uuid.UUID(str(user_pid))
    except ValueError:
        return None
    stmt=select(Users.id).where(Users.public_id==user_pid,Users.deleted_at==None)
    res=await session.execute(stmt)
    user_id=res.scalar_one_or_none()
    return user_id


async def get_password_credential(session,user_id):
    """Return the active password hash for the user or None when there is none (oauth only or revoked)."""
    stmt=(
        select(Credential.password_hash)
        .where(Credential.user_id==user_id,
               Credential.type==CredentialType.PASSWORD.value,
               Credential.revoked_at.is_(None))
        .order_by(Credential.created_at.desc(),Credential.id.desc())
        .limit(1)
    )
    res=await session.execute(stmt)
    return res.scalar_one_or_none()


async def get_user_role_names(session,user_id):
    stmt=(
        select(Role.name)
        .join(UserRole,UserRole.role_id==Role.id)
        .where(UserRole.user_id==user_id)
    )
    res=await session.execute(stmt)
    return set(res.scalars().all())
