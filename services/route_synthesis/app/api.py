from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from . import deps, schemas
from .itinerary import DestinationNotFound, ItineraryStore, Snapshot
from .pipeline import ItineraryPipeline, country_set_payload, route_set_payload

router = APIRouter()


def _itinerary_out(snapshot: Snapshot) -> schemas.ItineraryOut:
    return schemas.ItineraryOut(
        destinations=[schemas.DestinationOut.from_domain(d) for d in snapshot]
    )


def _schedule(
    background_tasks: BackgroundTasks,
    pipeline: ItineraryPipeline,
    store: ItineraryStore,
) -> None:
    # tagged now: background tasks of concurrent requests may start in any order
    background_tasks.add_task(
        pipeline.handle_itinerary_changed, store.snapshot, store.version
    )


@router.get("/itinerary", response_model=schemas.ItineraryOut)
async def get_itinerary(
    store: ItineraryStore = Depends(deps.get_store),
) -> schemas.ItineraryOut:
    return _itinerary_out(store.snapshot)


@router.put("/itinerary", response_model=schemas.ItineraryOut)
async def replace_itinerary(
    data: schemas.ItineraryIn,
    background_tasks: BackgroundTasks,
    store: ItineraryStore = Depends(deps.get_store),
    pipeline: ItineraryPipeline = Depends(deps.get_pipeline),
) -> schemas.ItineraryOut:
    try:
        snapshot = store.replace(data.to_destinations())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    _schedule(background_tasks, pipeline, store)
    return _itinerary_out(snapshot)


@router.post(
    "/itinerary/destinations",
    response_model=schemas.DestinationOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_destination(
    data: schemas.DestinationIn,
    background_tasks: BackgroundTasks,
    store: ItineraryStore = Depends(deps.get_store),
    pipeline: ItineraryPipeline = Depends(deps.get_pipeline),
) -> schemas.DestinationOut:
    draft = data.to_domain(data.id or 0)
    try:
        created = store.add(
            draft.name,
            draft.coordinate,
            days=draft.days,
            transport_mode=draft.transport_mode,
            destination_id=data.id,
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=str(exc)
        ) from exc
    _schedule(background_tasks, pipeline, store)
    return schemas.DestinationOut.from_domain(created)


@router.patch(
    "/itinerary/destinations/{destination_id}", response_model=schemas.DestinationOut
)
async def update_destination(
    destination_id: int,
    data: schemas.DestinationPatch,
    background_tasks: BackgroundTasks,
    store: ItineraryStore = Depends(deps.get_store),
    pipeline: ItineraryPipeline = Depends(deps.get_pipeline),
) -> schemas.DestinationOut:
    try:
        updated = store.update(
            destination_id, days=data.days, transport_mode=data.transport_mode
        )
    except DestinationNotFound as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Destination not found"
        ) from exc
    _schedule(background_tasks, pipeline, store)
    return schemas.DestinationOut.from_domain(updated)


@router.delete(
    "/itinerary/destinations/{destination_id}", response_model=schemas.ItineraryOut
)
async def remove_destination(
    destination_id: int,
    background_tasks: BackgroundTasks,
    store: ItineraryStore = Depends(deps.get_store),
    pipeline: ItineraryPipeline = Depends(deps.get_pipeline),
) -> schemas.ItineraryOut:
    try:
        snapshot = store.remove(destination_id)
    except DestinationNotFound as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Destination not found"
        ) from exc
    _schedule(background_tasks, pipeline, store)
    return _itinerary_out(snapshot)


@router.post("/itinerary/reorder", response_model=schemas.ItineraryOut)
async def reorder_itinerary(
    data: schemas.ReorderRequest,
    background_tasks: BackgroundTasks,
    store: ItineraryStore = Depends(deps.get_store),
    pipeline: ItineraryPipeline = Depends(deps.get_pipeline),
) -> schemas.ItineraryOut:
    try:
        snapshot = store.reorder(data.from_index, data.to_index)
    except IndexError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    _schedule(background_tasks, pipeline, store)
    return _itinerary_out(snapshot)


@router.get("/itinerary/routes", response_model=schemas.RouteSetOut)
async def get_routes(
    pipeline: ItineraryPipeline = Depends(deps.get_pipeline),
) -> schemas.RouteSetOut:
    return schemas.RouteSetOut(**route_set_payload(pipeline.routes))


@router.get("/itinerary/countries", response_model=schemas.CountriesOut)
async def get_countries(
    pipeline: ItineraryPipeline = Depends(deps.get_pipeline),
) -> schemas.CountriesOut:
    return schemas.CountriesOut(**country_set_payload(pipeline.countries))
