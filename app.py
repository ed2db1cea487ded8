# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db armazem.db
  python app.py params show
  python app.py ucp criar -u joao --pallet 1
  python app.py item transferir 10 2 30 -u joao
  python app.py composicao validar 1 -l 1:100 --altura-max 180
"""

from armazem.adapters.cli import main

if __name__ == "__main__":
    main()
