import psycopg2


SQL_CREATE_ROLE = """
DO $$
BEGIN
  IF NOT EXISTS (SELECT FROM pg_roles WHERE rolname='app') THEN
    CREATE ROLE app LOGIN PASSWORD 'app';
  END IF;
END$$;
"""

SQL_DB_EXISTS = "SELECT 1 FROM pg_database WHERE datname='stats'"


def main():
    conn = psycopg2.connect(dbname='postgres', user='postgres')
    conn.autocommit = True
    with conn.cursor() as cur:
        cur.execute(SQL_CREATE_ROLE)
        # CREATE DATABASE 不能放在 DO 块里执行
        cur.execute(SQL_DB_EXISTS)
        if cur.fetchone() is None:
            cur.execute("CREATE DATABASE stats OWNER app;")
    conn.close()
    print("PostgreSQL role/db prepared.")


if __name__ == '__main__':
    main()
