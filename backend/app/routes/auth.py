from bson import ObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, HTTPException, Depends, Request, Response
from app.models.user_model import UserCreate, UserLogin
from app.utils.security import hash_password, verify_password, create_access_token, get_current_user, TOKEN_COOKIE
from app import config

router = APIRouter()


def get_users(request: Request):
    return request.app.state.db["users"]


@router.post("/register")
async def register(user: UserCreate, users=Depends(get_users)):
    existing = await users.find_one({"email": user.email})
    if existing:
        raise HTTPException(400, "Email already registered")
    await users.insert_one({
        "email": user.email,
        "hashed_password": hash_password(user.password)
    })
    return {"message": "User registered"}


@router.post("/login")
async def login(user: UserLogin, response: Response, users=Depends(get_users)):
    db_user = await users.find_one({"email": user.email})
    if not db_user or not verify_password(user.password, db_user["hashed_password"]):
        raise HTTPException(401, "Invalid credentials")
    token = create_access_token({"sub": str(db_user["_id"])})
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        httponly=True,
        samesite="lax",
        secure=config.APP_ENV != "development",
        max_age=config.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return {"access_token": token}


@router.get("/me")
async def get_logged_user(user_id: str = Depends(get_current_user), users=Depends(get_users)):
    try:
        user = await users.find_one({"_id": ObjectId(user_id)})
    except InvalidId:
        user = None
    if not user:
        raise HTTPException(404, "User not found")

    name = user["email"].split("@")[0].capitalize()
    avatar = name[0].upper()

    return {
        "id": str(user["_id"]),
        "email": user["email"],
        "name": name,
        "avatar": avatar,
    }
